# src/crypto_control_bot/app/__init__.py
"""
App layer: Telegram adapter, command dispatch, notifications, wiring.

Nothing is imported eagerly here; use app.compose.build_control().
"""
