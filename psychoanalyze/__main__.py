from psychoanalyze.cli import cli

cli()
