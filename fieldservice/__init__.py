"""Booking and dispatch backend for a field-service business."""
