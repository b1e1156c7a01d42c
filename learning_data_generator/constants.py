"""
Configuration constants for the learning data generator.

Defaults mirror the offline planning feature generator: 100 localization
messages per label, 100 frames per shard, one label point every 10 poses and
a window that slides by 5 poses after each label.
"""

# ---------------------------------------------------------------------------
# Labeling and rotation
# ---------------------------------------------------------------------------

DEFAULT_LABEL_SAMPLE_INTERVAL = 100        # localization msgs per label
DEFAULT_FRAMES_PER_SHARD = 100             # frames written per data file
DEFAULT_TRAJECTORY_POINT_INTERVAL = 10     # localization msgs per label point
DEFAULT_WINDOW_STEP = 5                    # oldest poses dropped after a label

# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------

DEFAULT_LOCALIZATION_CHANNEL = "/apollo/localization/pose"
DEFAULT_CHASSIS_CHANNEL = "/apollo/canbus/chassis"

# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

DEFAULT_OUTPUT_DIR = "./learning_data"
SHARD_PREFIX = "learning_data"
BINARY_SUFFIX = ".bin"
TEXT_SUFFIX = ".json"

ENCODING_BINARY = "binary"
ENCODING_TEXT = "text"
OUTPUT_ENCODINGS = (ENCODING_BINARY, ENCODING_TEXT)

# ---------------------------------------------------------------------------
# Chassis gear positions
# ---------------------------------------------------------------------------

GEAR_NONE = 6

# Record file extensions picked up by batch mode
RECORD_EXTENSIONS = (".bag",)
