"""
Quota fallback decision.

Called by the retry engine (as ``on_persistent_429``) when a model is out of
quota or unavailable. Asks the registered handler what to do and applies the
answer to the chat context.
"""

import inspect
import logging
from typing import Any, Optional, TYPE_CHECKING

from ..config.models import get_fallback_model, resolve_model
from .negotiation import RETRY_ALWAYS, RETRY_LATER, RETRY_ONCE, STOP, UPGRADE

if TYPE_CHECKING:
    from ..chat.context import ChatContext

logger = logging.getLogger(__name__)

AUTH_API_KEY = "gemini-api-key"
AUTH_OAUTH = "oauth-personal"
# Auth types for which switching models on quota errors is offered
FALLBACK_AUTH_TYPES = (None, AUTH_OAUTH)

UPGRADE_URL = "https://goo.gle/set-up-gemini-code-assist"


async def handle_fallback(
    context: "ChatContext",
    failed_model: str,
    auth_type: Optional[str] = None,
    error: Any = None,
) -> Optional[bool]:
    """
    Negotiate a fallback for ``failed_model``.

    Returns:
        True to retry (possibly against a new model), False to give up,
        None when no negotiation took place.
    """
    if auth_type not in FALLBACK_AUTH_TYPES:
        return None

    handler = context.fallback_handler
    if handler is None:
        return None

    failed_model = resolve_model(failed_model)
    # Last model in the chain falls back to itself
    fallback_model = get_fallback_model(failed_model) or failed_model

    try:
        intent = handler(failed_model, fallback_model, error)
        if inspect.isawaitable(intent):
            intent = await intent
    except Exception as handler_error:  # noqa: BLE001
        logger.error(f"Fallback handler failed: {handler_error}", exc_info=handler_error)
        return None

    if intent == RETRY_ALWAYS:
        context.activate_fallback_mode(fallback_model)
        return True
    if intent == RETRY_ONCE:
        context.set_active_model(fallback_model)
        return True
    if intent in (STOP, RETRY_LATER):
        return False
    if intent == UPGRADE:
        logger.info(f"Upgrade requested; visit {UPGRADE_URL}")
        return False

    logger.warning(f"Unexpected fallback intent: {intent}")
    return None
