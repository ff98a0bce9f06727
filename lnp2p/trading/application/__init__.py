"""Application layer: services and the notification sink contract."""
