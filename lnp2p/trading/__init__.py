"""P2P trade lifecycle: orders, actors and the guards that move orders between states."""
