# Copyright 2025 NeuroBM Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Configuration module for BMSampler.

Loading, validation and application of sampling configurations.
"""

from .config_manager import (
    ConfigManager,
    DEFAULT_CONFIG_PATH,
    resolve_dtype,
    resolve_device,
    build_generator,
    sampling_kwargs,
    configure_logging,
    load_config,
    save_config,
)

__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "resolve_dtype",
    "resolve_device",
    "build_generator",
    "sampling_kwargs",
    "configure_logging",
    "load_config",
    "save_config",
]
