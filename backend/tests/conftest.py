"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally reach a real Notion workspace
os.environ.setdefault("NOTION_TOKEN", "secret_test_fake_token")
os.environ.setdefault(
    "NOTION_MASTER_DB_URL",
    "https://www.notion.so/acme/0123456789abcdef0123456789abcdef",
)
os.environ.setdefault("LOG_FORMAT", "text")
