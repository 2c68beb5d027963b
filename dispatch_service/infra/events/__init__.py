"""Event infrastructure: the transactional outbox."""
