from __future__ import annotations

import base64

from .schemas import TokenOut, TokenView


# PUBLIC_INTERFACE
def basic_token(view: TokenView) -> str:
    """
    Encode a workspace token view as the value external clients put after
    'Basic ' in the Authorization header.

    Args:
        view: Settings id and raw API access token of a workspace.

    Returns:
        base64 of '{settings_id}:{api_access_token}'.
    """
    raw = f"{view.settings_id}:{view.api_access_token}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def token_out(view: TokenView) -> TokenOut:
    return TokenOut(**view.model_dump(), basic_token=basic_token(view))
