# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .settings import AppConfig, AuthPolicyConfig, PaymentConfig, load_config

__all__ = ["AppConfig", "AuthPolicyConfig", "PaymentConfig", "load_config"]
