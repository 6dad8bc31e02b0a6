"""Models listing endpoint - OpenAI compatible."""

import logging

from ...translation import list_model_cards

logger = logging.getLogger("claude-bridge")


async def list_models() -> dict:
    """List available models in OpenAI API format.

    GET /v1/models

    Returns:
        A dictionary containing one entry per supported model tier.
    """
    logger.info("Received models list request")
    return {
        "object": "list",
        "data": list_model_cards(),
    }
