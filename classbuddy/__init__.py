"""ClassBuddy: per-course attendance tracking against the 75% rule."""
