"""Capability Engine.

Resolves free-text teacher requests into validated, parameterized
capability calls, clarifying questions or conversational replies.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
