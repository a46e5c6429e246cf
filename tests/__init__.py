# SPDX-License-Identifier: Apache-2.0
"""
HlpAI SDK Tests

Tests for the operation execution middleware (validation, rate limiting,
retries, classification, statistics, audit) and the provider variants.
"""
