"""Browser login for trieve_cli.

:class:`~trieve_cli.auth.callback.CallbackListener` receives the API key
from the dashboard redirect, and
:class:`~trieve_cli.auth.flow.AuthFlowCoordinator` drives the whole login
around it.
"""

from trieve_cli.auth.callback import (
    CallbackHandle,
    CallbackListener,
    CaptureStrategy,
    extract_header,
    extract_query_param,
)
from trieve_cli.auth.flow import AuthFlowCoordinator, FlowState, build_login_url

__all__ = [
    "AuthFlowCoordinator",
    "CallbackHandle",
    "CallbackListener",
    "CaptureStrategy",
    "FlowState",
    "build_login_url",
    "extract_header",
    "extract_query_param",
]
