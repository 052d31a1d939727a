"""Audio buffering, capture and WAV persistence."""
