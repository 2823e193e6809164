"""Event-driven engines that react to guild activity."""
