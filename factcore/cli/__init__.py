"""Terminal front end for factcore."""
