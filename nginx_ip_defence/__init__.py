"""
nginx-ip-defence - аналіз access-логу веб-сервера та формування blocklist
Рахує запити по IP за останню добу логу, визначає країну через whois,
вирішує які IP блокувати та пише звіти для downstream-блокування
"""

__version__ = "0.4.0"
