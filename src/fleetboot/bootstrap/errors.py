# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations


class BootstrapError(RuntimeError):
    """A fatal condition: the sequence stops at the step that raised it."""


class DeviceNotFoundError(BootstrapError):
    pass


class FormatError(BootstrapError):
    pass


class MountVerificationError(BootstrapError):
    pass


class RuntimeUnhealthyError(BootstrapError):
    pass
