"""
Adapter layer for the gateway.

Contains the queue client abstraction and its SQS implementation.
"""
