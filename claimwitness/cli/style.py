"""
Terminal styling shared by the claimwitness commands.

Color is off unless stdout is a TTY, so piped and captured output stays
plain text.
"""

import json
import sys

import click


_CODES = {
    "green":  "32",
    "red":    "31",
    "cyan":   "36",
    "bold":   "1",
    "dim":    "2",
}


class _Color:
    """ANSI wrapper. configure() once per command before printing."""

    _on: bool = False

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def _wrap(cls, name: str, s: str) -> str:
        if not cls._on:
            return s
        return f"\033[{_CODES[name]}m{s}\033[0m"

    @classmethod
    def green(cls, s: str) -> str:
        return cls._wrap("green", s)

    @classmethod
    def red(cls, s: str) -> str:
        return cls._wrap("red", s)

    @classmethod
    def cyan(cls, s: str) -> str:
        return cls._wrap("cyan", s)

    @classmethod
    def bold(cls, s: str) -> str:
        return cls._wrap("bold", s)

    @classmethod
    def dim(cls, s: str) -> str:
        return cls._wrap("dim", s)


def _row(label: str, mark: str, value: str) -> str:
    return f"  {_Color.dim(f'{label:<18}')}  {mark}  {value}"


def _row_ok(label: str, value: str) -> str:
    return _row(label, _Color.green("✅"), value)


def _row_fail(label: str, value: str) -> str:
    return _row(label, _Color.red("❌"), value)


def _row_info(label: str, value: str) -> str:
    return _row(label, "  ", _Color.dim(value))


def _emit_error(msg: str, fmt: str, quiet: bool, section: str) -> None:
    """Report a load error under the command's JSON section, or on stderr."""
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({section: {"error": msg, "valid": False}}))
    else:
        click.echo(_Color.red(f"\n  ❌  ERROR: {msg}\n"), err=True)
