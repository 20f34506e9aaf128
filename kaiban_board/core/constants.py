"""Constants used throughout the Kaiban Board application."""


# Workspace layout
DATA_DIR_NAME = ".kaiban"
CONFIG_FILE_NAME = "config.json"
TASK_FILE_EXTENSION = ".md"
EXCLUDED_TASK_FILES = {"README.md"}

# Timeout values (seconds)
PROBE_TIMEOUT = 5
GIT_TIMEOUT = 10
WORKTREE_TIMEOUT = 30
GITHUB_TIMEOUT = 30
AI_MERGE_TIMEOUT = 120  # 2 minutes
REVIEW_TIMEOUT = 180  # 3 minutes

# Cache lifetimes (seconds)
CLI_DETECTION_CACHE_SECONDS = 300
GITHUB_STATUS_CACHE_SECONDS = 300

# Prompt limits
REVIEW_PRD_LIMIT = 1000
REVIEW_DIFF_LIMIT = 15000
MERGE_PRD_LIMIT = 1500
FALLBACK_SUMMARY_LIMIT = 500

# AI CLI providers, in auto-selection preference order
CLI_PREFERENCE_ORDER = ["claude", "codex", "cursor"]

CLI_DISPLAY_NAMES = {
    "claude": "Claude CLI",
    "codex": "Codex CLI",
    "cursor": "Cursor CLI",
}

CLI_INSTALL_INSTRUCTIONS = {
    "claude": "Install Claude CLI: npm install -g @anthropic-ai/claude-cli",
    "codex": "Install Codex CLI: npm install -g @openai/codex",
    "cursor": "Cursor CLI is included with Cursor IDE",
}

# Providers that understand the ralph-loop slash command
RALPH_LOOP_PROVIDERS = {"claude"}

REVIEW_FEEDBACK_HEADER = "REVIEW FEEDBACK TO ADDRESS:"

KEEP_A_CHANGELOG_HEADER = """# Changelog

All notable changes to this project will be documented in this file.

The format is based on [Keep a Changelog](https://keepachangelog.com/en/1.0.0/),
and this project adheres to [Semantic Versioning](https://semver.org/spec/v2.0.0.html).
"""
