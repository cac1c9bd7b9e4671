# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package of the capability engine.

- config: Application configuration and settings
- capabilities: Capability documents, registry and seeding
- resolution: Trigger matching, ranking and the intent resolver
- execution: Validation and dispatch of resolved calls
- intelligence: LLM and embedding clients
- engine: The facade wiring everything together
"""
