"""
Modules - Runtime features.

- views/  - Interactive view runtime (pipeline, views, differ, runtime)
- bot/    - Telegram transport (aiogram)
"""
