"""Constants for the Brainwave Binaural Generator."""

DEFAULT_SAMPLE_RATE = 44100
DEFAULT_BLOCK_SIZE = 1024

DEFAULT_CARRIER_FREQUENCY = 200.0
DEFAULT_BEAT_FREQUENCY = 6.0
DEFAULT_VOLUME_DB = -20.0
DEFAULT_BAND = "theta"

MIN_CARRIER_FREQUENCY = 100.0
MAX_CARRIER_FREQUENCY = 2000.0
CARRIER_STEP = 10.0
CARRIER_PRESETS = (200.0, 1000.0)

BEAT_STEP = 0.1

MIN_VOLUME_DB = -40.0
MAX_VOLUME_DB = 0.0
VOLUME_STEP = 1.0

LEFT_PAN = -1.0
RIGHT_PAN = 1.0

WAVEFORM_TYPES = ("sine", "triangle", "square", "sawtooth")

# Diagnostic tone played on start when enabled
TEST_TONE_FREQUENCY = 440.0
TEST_TONE_TYPE = "triangle"
TEST_TONE_VOLUME_DB = -20.0
TEST_TONE_DURATION = 1.0
