"""
                Festa - Reserva de Comidas

Backend for a party food list: guests register with name and phone,
see what everyone is bringing and reserve one unit of each dish.

Version: 1.0.0
"""

__version__ = "1.0.0"
