"""AI tutor: provider dispatch, LiteLLM client and step-scoped chat."""

from typing import Any, cast

import litellm


litellm.drop_params = True
# LiteLLM exposes suppress_debug_info as Literal[False]; cast avoids false-positive type errors
cast("Any", litellm).suppress_debug_info = True
