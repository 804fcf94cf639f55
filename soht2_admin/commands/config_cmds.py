from __future__ import annotations

import typer
from rich import print, print_json

from soht2_admin.commands.common import read_config_or_exit, write_config_or_exit
from soht2_admin.config import Soht2AdminConfig, get_config_path, load_config


def config_path_cmd() -> None:
    print(str(get_config_path()))


def config_show_cmd() -> None:
    """Print the effective config (file plus environment), password masked."""

    read_config_or_exit()
    cfg: Soht2AdminConfig = load_config()
    print_json(data=cfg.redacted())


def config_set_cmd(*, key: str, value: str) -> None:
    if key not in Soht2AdminConfig.__dataclass_fields__:
        print(f"[red]Unknown config key: {key}[/red]")
        raise typer.Exit(code=1)
    data = read_config_or_exit()
    data[key] = value
    write_config_or_exit(data)
    print(f"[green]Set {key} in {get_config_path()}[/green]")
