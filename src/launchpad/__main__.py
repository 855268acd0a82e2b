from launchpad.cli.main import run

run()
