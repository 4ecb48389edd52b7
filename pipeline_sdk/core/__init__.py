# pipeline_sdk/core/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""Context types, error taxonomy, outcomes and shared helpers."""
