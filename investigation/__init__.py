"""Investigation state engine: phases, clues, dialog tiers, accusations and saves."""
