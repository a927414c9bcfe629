"""Engine components: phases, clues, dialog, conversations, accusation, persistence."""
