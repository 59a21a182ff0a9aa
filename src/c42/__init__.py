"""42-community backend: activity ranks and realtime chat."""
