"""Live messaging: store, connection registry, delivery and Socket.IO handlers."""
