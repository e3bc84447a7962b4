"""HTTP services around the Klondike engine."""
