# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from .configuration import DEFAULT_SESSION_TIMEOUT_MS, SDKConfig
from .loader import get_bool_env, get_int_env, get_str_env

__all__ = [
    "DEFAULT_SESSION_TIMEOUT_MS",
    "SDKConfig",
    "get_bool_env",
    "get_int_env",
    "get_str_env",
]
