"""Game orchestration engine: commands, events, effects and the director."""
