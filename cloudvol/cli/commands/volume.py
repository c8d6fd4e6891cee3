"""
Volume management commands.
"""

from typing import List, Optional

import typer

from cloudvol.cli.lib.config import load_config
from cloudvol.cli.lib.validators import parse_option, validate_name
from cloudvol.driver.base import VolumeDriver
from cloudvol.driver.exceptions import AlreadyMountedError, NotMountedError
from cloudvol.driver.factory import create_driver

app = typer.Typer(help="Volume management commands")


def _driver() -> VolumeDriver:
    return create_driver(load_config())


@app.command()
def create(
    name: str = typer.Argument(..., help="Volume name"),
    opt: Optional[List[str]] = typer.Option(None, "--opt", "-o", help="Create option as key=value (sizeGb, type)"),
):
    """
    Create a new volume.

    Creates a disk, attaches it to this instance, formats and mounts it.
    """
    try:
        validate_name(name)
        options = dict(parse_option(o) for o in opt or [])

        typer.echo(f"Creating volume: {name}")
        vol = _driver().create(name, options)
        typer.echo(f"  Mounted at: {vol.path}")

        typer.echo(f"Volume {name} created successfully")

    except Exception as e:
        typer.echo(f"Error creating volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def remove(
    name: str = typer.Argument(..., help="Volume name"),
):
    """
    Delete a volume.
    """
    try:
        _driver().remove(name)
        typer.echo(f"Volume {name} removed successfully")
    except Exception as e:
        typer.echo(f"Error removing volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def mount(
    name: str = typer.Argument(..., help="Volume name"),
):
    """
    Attach and mount a volume on this instance.
    """
    try:
        path = _driver().mount(name)
        typer.echo(f"Volume {name} mounted at: {path}")
    except AlreadyMountedError as e:
        typer.echo(f"Volume {name} already mounted at: {e.path}")
    except Exception as e:
        typer.echo(f"Error mounting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def unmount(
    name: str = typer.Argument(..., help="Volume name"),
):
    """
    Unmount a volume and detach it from this instance.
    """
    try:
        _driver().unmount(name)
        typer.echo(f"Volume {name} unmounted and detached")
    except NotMountedError:
        typer.echo(f"Volume {name} is not mounted")
    except Exception as e:
        typer.echo(f"Error unmounting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def get(
    name: str = typer.Argument(..., help="Volume name"),
):
    """
    Show the state of a volume.
    """
    try:
        vol = _driver().get(name)
        typer.echo(f"{vol.name} state={vol.state.value} ready={vol.ready} mount={vol.path or '-'}")
    except Exception as e:
        typer.echo(f"Error getting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def list():
    """
    List volumes.
    """
    try:
        volumes = _driver().list()
        if not volumes:
            typer.echo("No volumes found")
            return
        for vol in volumes:
            typer.echo(f"{vol.name} ready={vol.ready}")
    except Exception as e:
        typer.echo(f"Error listing volumes: {e}", err=True)
        raise typer.Exit(1)
