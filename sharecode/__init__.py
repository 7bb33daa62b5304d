"""Share codes and the pointer records they resolve to."""
