"""
Shared constants for the stock-and-flow engine
Centralizes names so the integrator registry, config validation and models agree
"""

# ============================================================================
# Integration Methods
# ============================================================================

EULER = "euler"
RK4 = "rk4"

VALID_INTEGRATION_METHODS = {EULER, RK4}

# RK4 is used wherever no integrator is passed explicitly
DEFAULT_INTEGRATION_METHOD = RK4

# ============================================================================
# Simulation Defaults
# ============================================================================

DEFAULT_START_TIME = 0.0
DEFAULT_STEP_SIZE = 1.0
DEFAULT_DELTA_PER_SECOND = 1.0
