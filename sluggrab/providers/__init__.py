"""Cloud provider clients."""
