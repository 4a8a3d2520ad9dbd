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

CHURCH_NAME = "TRUEVINE FELLOWSHIP Church"

MIN_PASSWORD_LENGTH = 8
MAX_NAME_LENGTH = 100
MAX_TITLE_LENGTH = 300
MAX_NOTIFICATION_BODY_LENGTH = 1000

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

MIN_SEARCH_QUERY_LENGTH = 2
MAX_SEARCH_RESULTS = 100
DEFAULT_SEARCH_LIMIT = 50

INVITATION_CODE_LENGTH = 8
INVITATION_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# Seconds within which the same notification title to the same user is dropped.
NOTIFICATION_DEDUPE_WINDOW = 60

PASSWORD_RESET_TTL_SECONDS = 60 * 60
EMAIL_VERIFICATION_TTL_SECONDS = 48 * 60 * 60

FEATURED_LIMIT = 5
RECENT_CONTENT_LIMIT = 10
UPCOMING_REMINDERS_LIMIT = 10

TWITTER_MESSAGE_LIMIT = 200

TRENDING_FALLBACK_TERMS = (
    "faith",
    "prayer",
    "worship",
    "bible study",
    "community",
    "forgiveness",
    "grace",
    "love",
    "hope",
    "peace",
)

# Byte limits per top-level mime type for media uploads.
MEDIA_SIZE_LIMITS = {
    "image": 10 * 1024 * 1024,
    "audio": 200 * 1024 * 1024,
    "video": 1024 * 1024 * 1024,
    "application": 25 * 1024 * 1024,
}

ALLOWED_DOCUMENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
