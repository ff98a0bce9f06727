"""Domain layer for P2P trading.

Contains entities, enums, the transition table, typed outcomes and domain events.
"""
