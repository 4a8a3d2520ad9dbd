# Copyright 2025 Google LLC
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
# ==============================================================================

import time
import uuid
from datetime import date, datetime, timezone


def get_unique_id() -> str:
    """Returns a new random id suitable for primary keys."""
    return uuid.uuid4().hex


def now_ts() -> float:
    return time.time()


def ts_to_date(value: float) -> date:
    """Converts an epoch timestamp into a UTC calendar date."""
    return datetime.fromtimestamp(value, tz=timezone.utc).date()


def date_to_ts(value: date) -> float:
    """Converts a calendar date into the epoch timestamp of its UTC midnight."""
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp()


def format_duration(seconds: int) -> str:
    """Formats a duration in seconds as m:ss."""
    minutes, remainder = divmod(int(seconds), 60)
    return f"{minutes}:{remainder:02d}"


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()
