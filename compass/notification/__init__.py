"""Outbound notification package.

The senders here are fire-and-forget stand-ins for the real email and SMS
providers: they log the intent and return nothing.  Delivery results are
never fed back into the pipeline.
"""
