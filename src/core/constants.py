"""Core constants used across Warpdrive modules.

This module centralizes shard naming rules and pipeline defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

SHARD_NAME_PATTERN = r"^shard-[0-9]{6,}\.tar$"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")
LABEL_EXTENSION = ".cls"

DEFAULT_SEED = 42
DEFAULT_WORKER_COUNT = 1
DEFAULT_PENDING_CAP = 1024
FIRST_SEQUENCE_ID = 0
EMPTY_ROOTS_RETRY_SECONDS = 0.5
CHANNEL_POLL_SECONDS = 0.05
OUTPUT_CHANNEL_FACTOR = 2
SHARD_CHANNEL_FACTOR = 2
SAMPLER_JOIN_TIMEOUT_SECONDS = 5.0

DEFAULT_CONFIG_PATH = "configs/demo.yaml"
CONFIG_PATH_ENV_VAR = "WARPDRIVE_CONFIG"
LOG_LEVEL_ENV_VAR = "WARPDRIVE_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_EVERY = 50
DEFAULT_TRAIN_LEARNING_RATE = 0.05
DEFAULT_NUM_CLASSES = 1000
FEATURE_GRID_SIZE = 16
FEATURE_SIZE = FEATURE_GRID_SIZE * FEATURE_GRID_SIZE
LOSS_PROBABILITY_FLOOR = 1e-9
DEFAULT_TRAIN_HISTORY_FILE_NAME = "history.json"
