"""CLI entry point for phasewise."""

import click

from . import __version__
from .commands import init, maxes, program, schedule, serve, session, templates
from .logging_config import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="phasewise")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file")
def main(log_file: str | None):
    """phasewise: phased training programs for young athletes.

    Programs move through General, Specific and Sport-Specific Preparation
    phases. Each athlete can rearrange workouts inside a phase without
    touching the shared template grid.

    Example usage:

        # Initialize the project and load templates
        phasewise init
        phasewise templates load templates.json

        # Start a program and see today's workout
        phasewise program start --category 1 --age-group 14-17 --years 2 --days 3
        phasewise schedule today

        # Run the workout
        phasewise session start
        phasewise session log 0 0 --reps 10 --weight 40
        phasewise session complete
    """
    configure_logging(log_file=log_file)


# Register commands
main.add_command(init)
main.add_command(templates)
main.add_command(program)
main.add_command(schedule)
main.add_command(session)
main.add_command(maxes)
main.add_command(serve)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
