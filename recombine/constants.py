"""Engine constants.

The recombination region is found by name: the engine reserves
``RESERVED_REGION_NAME`` for the single region it maintains at the end of the
timeline.  Region lengths are measured in lines and capped at
``MAX_REGION_LENGTH`` - a polyrhythm whose least common multiple exceeds that
cap falls back to a plain copy.

Palette values are the velocities sent to a Launchpad-style controller in
programmer mode, where the note velocity selects a colour from the device's
built-in palette.
"""

RESERVED_REGION_NAME = "__RECOMBINE__"

MAX_REGION_LENGTH = 512
DEFAULT_REGION_LENGTH = 64

# Physical grid
DEFAULT_GRID_WIDTH = 8
DEFAULT_GRID_HEIGHT = 8

# Page sizes may be set explicitly within this range, or left automatic
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 16

# Deferred call delays (seconds)
MUTE_PULSE_DELAY = 0.1
NEW_TRACK_MUTE_DELAY = 0.1

# Idle loop and gestures (seconds)
DEFAULT_IDLE_INTERVAL = 0.05
DEFAULT_HOLD_TIME = 0.5

# Controller palette (Launchpad colour indices)
PALETTE_OFF = 0
PALETTE_EMPTY = 0
PALETTE_ACTIVE_FILLED = 13			# bright yellow
PALETTE_ACTIVE_EMPTY = 9			# orange
PALETTE_FILLED = 55					# dim purple
PALETTE_FILLED_SILENT = 7			# dim red
PALETTE_OUT_OF_BOUNDS = 15			# dim yellow
PALETTE_NAVIGATION_ON = 5			# red

ABORT_MESSAGE = "The recombination region was lost - the engine needs to be restarted."
