"""
Log codes for configuration and delivery operations.
"""

CONFIG = "config"

# Client Configuration
CLIENT = f"{CONFIG}.client"
CLIENT_RESOLVED = f"{CLIENT}.resolved"
CLIENT_SECRET_MISSING = f"{CLIENT}.secret_missing"

# TLS Configuration
TLS = f"{CONFIG}.tls"
TLS_RESOLVED = f"{TLS}.resolved"
TLS_SYSTEM_STORE_RESOLVED = f"{TLS}.system_store_resolved"

# Queue
QUEUE = "queue"
QUEUE_RECORD_DROPPED = f"{QUEUE}.record_dropped"
QUEUE_CLOSED = f"{QUEUE}.closed"

# Dispatch
DISPATCH = "dispatch"
DISPATCH_STARTED = f"{DISPATCH}.started"
DISPATCH_BATCH_SENT = f"{DISPATCH}.batch_sent"
DISPATCH_BATCH_FAILED = f"{DISPATCH}.batch_failed"
DISPATCH_STOPPING = f"{DISPATCH}.stopping"
DISPATCH_STOPPED = f"{DISPATCH}.stopped"
DISPATCH_DRAIN_ABANDONED = f"{DISPATCH}.drain_abandoned"
DISPATCH_CALLBACK_FAILED = f"{DISPATCH}.callback_failed"
