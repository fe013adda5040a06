"""Kafka relay settings, in-memory deduplication, record keys and metrics."""