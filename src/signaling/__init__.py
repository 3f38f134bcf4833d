"""Call signaling: user registry, call sessions and the relay between browsers."""
