"""Config commands -- view and modify the pkgcache configuration.

Provides the ``pkgcache config`` sub-command group for reading, updating and
resetting the :class:`~pkgcache.models.CacheConfig` file in the config
directory. Settings control the cache root, the default age threshold and
the argument names left out of call fingerprints.
"""

from __future__ import annotations

import typer

from pkgcache.output import error, info, print_json, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration (file, environment and defaults merged).

    Example::

        pkgcache config show
    """
    from pkgcache.config import config_path, resolve_cache_root, resolve_config

    config = resolve_config()
    info(f"Config file: {config_path()}")
    info(f"Cache root: {resolve_cache_root(config)}")
    print_json(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (e.g. 'default_max_age')."),
    value: str = typer.Argument(help="Value to set. Lists are comma-separated."),
) -> None:
    """Set a configuration value.

    The value is coerced to the field's type and the result validated
    before saving.

    Raises:
        typer.Exit: With code 2 for an unknown key or an invalid value.

    Example::

        pkgcache config set default_max_age "12 hours"
        pkgcache config set exclude_args use_cache,cache_lifespan,verbose
    """
    from pkgcache.config import load_config, save_config
    from pkgcache.durations import parse_duration
    from pkgcache.exceptions import InvalidArgumentError
    from pkgcache.models import CacheConfig

    config = load_config()
    data = config.model_dump(mode="json")
    if key not in data:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    if isinstance(data[key], list):
        coerced = [item.strip() for item in value.split(",") if item.strip()]
    else:
        coerced = value
    data[key] = coerced

    if key == "default_max_age":
        try:
            parse_duration(value)
        except InvalidArgumentError as exc:
            error(str(exc))
            raise typer.Exit(code=2) from None

    try:
        new_config = CacheConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the configuration to defaults.

    Example::

        pkgcache config reset --force
    """
    from pkgcache.config import save_config
    from pkgcache.models import CacheConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_config(CacheConfig())
    success("Configuration reset to defaults.")
