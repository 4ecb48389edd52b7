# tests/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""
Pipeline SDK tests.

Unit tests for the policies, response helpers and adapters, plus end-to-end
tests that drive both wrappers through the shared orchestrator.
"""
