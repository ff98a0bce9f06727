"""lnp2p - order lifecycle core for peer-to-peer Lightning trades.

Mediates Bitcoin-for-fiat trades settled over the Lightning Network: order
creation, taking, fiat-sent confirmation, escrow release and disputes, with
race-free state transitions backed by conditional database writes.
"""

__version__ = "0.3.0"
