from sluggrab.cli import cli

cli()
