"""Command groups for the codebase intel CLI.

Provides:
  cbi config show: print the effective configuration
  cbi config set: set one ``section.key`` value in config.toml
"""

from __future__ import annotations

import json
from typing import Any

import typer

from . import config, config_manager

# ── Configuration group ──────────────────────────────────────
config_grp = typer.Typer(
    help="⚙️  Configuration: routing profile, graph and repo-map defaults.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _coerce(raw: str, current: Any) -> Any:
    """Parse *raw* as the type of the value it replaces."""
    if isinstance(current, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError:
            raise typer.BadParameter(f"Expected an integer, got '{raw}'.")
    return raw


@config_grp.command("show")
def show():
    """Print the configuration in effect (file values over defaults)."""
    typer.echo(f"# {config.CONFIG_FILE}")
    typer.echo(json.dumps(config_manager.load_full_config(), indent=2))


@config_grp.command("set")
def set_value(
    key: str = typer.Argument(..., help="Dotted key, e.g. routing.model_profile or graph.max_depth."),
    value: str = typer.Argument(..., help="New value."),
):
    """Persist one configuration value."""
    section, _, name = key.partition(".")
    if not name or section not in config_manager.DEFAULT_CONFIG:
        sections = ", ".join(config_manager.DEFAULT_CONFIG)
        raise typer.BadParameter(f"Key must be <section>.<name> with section one of: {sections}")

    cfg = config_manager.load_full_config()
    current = cfg.get(section, {}).get(name, "")
    cfg.setdefault(section, {})[name] = _coerce(value, current)
    if not config_manager.save_config(cfg):
        typer.echo(f"Could not write {config.CONFIG_FILE}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Set {section}.{name} = {cfg[section][name]}")
