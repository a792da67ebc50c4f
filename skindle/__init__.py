"""
skindle - send an ebook to a Kindle mailbox over SMTP.
"""

__version__ = "1.0.0"
