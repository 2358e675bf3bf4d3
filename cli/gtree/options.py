from __future__ import annotations

import typer

from gtreex.codec import PayloadCodec, get_payload_codec


def resolve_payload_codec(payload: str) -> PayloadCodec:
    """Return the payload codec named on the command line."""

    try:
        return get_payload_codec(payload)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--payload") from exc


__all__ = ["resolve_payload_codec"]
