"""Synthetic load generator for the booking API.

Simulated users browse the doctor listing, open doctor details and book
appointments while the pool aggregates latency and error statistics.
"""

__version__ = "1.0.0"
