"""Telegram webhook bot that categorizes S-Corp and Family LLC expenses into a Google Sheet."""
