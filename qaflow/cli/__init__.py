"""qaflow CLI - command line interface for running flow checklists."""

from qaflow.cli.commands import cli, load_flows
from qaflow.cli.output import ConsoleOutput, OutputConfig, create_output


def main() -> None:
    """Main entry point for the qaflow CLI."""
    cli()


__all__ = ["main", "cli", "load_flows", "ConsoleOutput", "OutputConfig", "create_output"]
