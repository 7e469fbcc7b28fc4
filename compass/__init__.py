"""Compass document processing worker."""
