"""
Status page, subscription form and Telegram webhook.
"""
