# pipeline_sdk/wrapper/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""HTTP and action wrappers over the shared pipeline orchestrator."""

from pipeline_sdk.wrapper.action import ActionWrapper, WrappedAction, create_action_wrapper
from pipeline_sdk.wrapper.api import ApiWrapper, create_api_wrapper
from pipeline_sdk.wrapper.config import Middleware, WrapperConfig, WrapperOptions
from pipeline_sdk.wrapper.pipeline import (
    Invocation,
    Pipeline,
    PipelineAdapters,
    PipelineDefaults,
    PipelineOptions,
    RunMeta,
)

__all__ = [
    "ActionWrapper",
    "WrappedAction",
    "create_action_wrapper",
    "ApiWrapper",
    "create_api_wrapper",
    "Middleware",
    "WrapperConfig",
    "WrapperOptions",
    "Invocation",
    "Pipeline",
    "PipelineAdapters",
    "PipelineDefaults",
    "PipelineOptions",
    "RunMeta",
]
