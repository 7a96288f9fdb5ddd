"""
Main CLI entry point for AdPulse
"""

import logging

import click

from .metrics import dashboard_command, creatives_command
from .tokens import encrypt_token_command


@click.group()
@click.version_option(version='0.1.0')
@click.option('--verbose', '-v', is_flag=True, help='Debug logging')
def cli(verbose: bool):
    """
    AdPulse - Meta Ads metrics for management dashboards

    Compute account and campaign rollups, official campaign results and
    creative reports straight from the Meta Graph API.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command('serve')
@click.option('--host', default='0.0.0.0', show_default=True)
@click.option('--port', type=int, default=8000, show_default=True)
@click.option('--reload', is_flag=True, help='Reload on code changes')
def serve(host: str, port: int, reload: bool):
    """Run the dashboard API with uvicorn"""
    import uvicorn

    uvicorn.run("adpulse.api.app:app", host=host, port=port, reload=reload)


# Register commands
cli.add_command(dashboard_command)
cli.add_command(creatives_command)
cli.add_command(encrypt_token_command)


if __name__ == '__main__':
    cli()
