# pipeline_sdk/response/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""Response envelopes, transformers and handler-facing helpers."""

from pipeline_sdk.response.action import ActionResponse, ActionResponses, action_error, action_success
from pipeline_sdk.response.api import ApiResponse, ApiResponses, create_error_response, json_response
from pipeline_sdk.response.transformers import (
    DEFAULT_TRANSFORMERS,
    ResponseTransformers,
    resolve_transformers,
    to_jsonable,
)

__all__ = [
    "ActionResponse",
    "ActionResponses",
    "action_error",
    "action_success",
    "ApiResponse",
    "ApiResponses",
    "create_error_response",
    "json_response",
    "DEFAULT_TRANSFORMERS",
    "ResponseTransformers",
    "resolve_transformers",
    "to_jsonable",
]
