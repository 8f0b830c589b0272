from vboot.cli import app

app()
