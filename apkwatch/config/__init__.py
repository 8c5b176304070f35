# Copyright 2025 Roger Cibrian
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

"""Configuration loading for apkwatch.

This module builds runtime settings from layered sources:

  - Built-in defaults
  - An optional YAML settings file (apkwatch.yaml)
  - Environment variables (a .env file is honoured)

The loader performs deep merging where dicts are merged recursively and
lists/scalars are replaced (last wins). Relative paths in the settings file
are resolved against the file's directory.

Public API:

- Settings: Frozen runtime settings
- load_settings: Merge, validate and freeze the settings
- merge_layers: Merge without validating (used by 'apkwatch validate')
- validate_settings: Return a list of configuration problems

Example:
    Basic usage:

        from apkwatch.config import load_settings

        settings = load_settings()
        print(settings.page_url)

"""

from .loader import Settings, load_settings, merge_layers, validate_settings

__all__ = ["Settings", "load_settings", "merge_layers", "validate_settings"]
