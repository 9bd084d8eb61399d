"""Bugsnag error reporting.

ERROR-level log records, including failed agent runs, are forwarded to
Bugsnag through a handler on the root logger.
"""

import logging

import bugsnag
from bugsnag.handlers import BugsnagHandler

LOCAL_RELEASE_STAGE = "local"


async def initialize_bugsnag(api_key: str, release_stage: str) -> BugsnagHandler | None:
    """Configure Bugsnag and attach its handler to the root logger.

    Args:
        api_key: Bugsnag project API key
        release_stage: Deployment stage ("production", "development" or "local")

    Returns:
        The attached handler, or None when running locally
    """
    if release_stage == LOCAL_RELEASE_STAGE:
        return None

    bugsnag.configure(
        api_key=api_key,
        release_stage=release_stage,
        auto_notify=True,
    )
    handler = BugsnagHandler()
    handler.setLevel(logging.ERROR)
    logging.getLogger().addHandler(handler)
    return handler
