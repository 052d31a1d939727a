"""Speaker voice range calibration."""
