"""KinetoFlow clinical practice backend."""
