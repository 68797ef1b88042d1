"""Engine — action execution and step orchestration."""
