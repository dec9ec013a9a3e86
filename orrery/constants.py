"""Physical constants and defaults for the orrery simulator (SI units)."""

# Newtonian constant of gravitation
G = 6.67430e-11  # m^3 kg^-1 s^-2

# Largest value held by the unsigned 16-bit tuning knobs (time/step scale)
U16_MAX = 65535

# Defaults exposed to the host
DEFAULT_TIME_SCALE = 1
DEFAULT_STEP_SCALE = 1
DEFAULT_HISTORY_MAX_SIZE = 1_000_000
DEFAULT_HISTORY_SAMPLE_INTERVAL = 1.0  # seconds of wall-clock time
DEFAULT_FRAME_DT = 1.0 / 60.0  # seconds
