"""Click option helpers: mutual exclusivity and JSON defaults files."""
import json

import click


class MutuallyExclusiveOption(click.Option):
    """Option that may not be combined with the options in exclusive_with."""

    def __init__(self, *args, **kwargs):
        self.exclusive_with = kwargs.pop("exclusive_with", [])
        super().__init__(*args, **kwargs)

    def handle_parse_result(self, ctx, opts, args):
        if self.name in opts:
            clashes = [other for other in self.exclusive_with if other in opts]
            if clashes:
                raise click.UsageError(
                    f"Options --{self.name} and --{clashes[0]} are mutually exclusive"
                )
        return super().handle_parse_result(ctx, opts, args)


def load_config_file(ctx: click.Context, param: click.Parameter, value: str | None) -> None:
    """Use a JSON file as the defaults for every other option.

    Keys are option names with underscores, for example
    {"port": 4000, "polling_interval": 200}. Options given on the command
    line still win.

    Raises:
        click.BadParameter: If the file is not a JSON object.
    """
    if value is None:
        return
    try:
        with open(value, encoding="utf-8") as f:
            defaults = json.load(f)
    except (OSError, ValueError) as e:
        raise click.BadParameter(f"Cannot load {value}: {e}", ctx=ctx, param=param) from e
    if not isinstance(defaults, dict):
        raise click.BadParameter(f"{value} must contain a JSON object", ctx=ctx, param=param)
    ctx.default_map = {**(ctx.default_map or {}), **defaults}
