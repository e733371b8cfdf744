"""Database models for principals, tickets and orders."""
from .order import Order, OrderCategory, OrderStatus
from .principal import Admin, AdminRole, Client, ClientStatus, PrincipalKind
from .sequence import SequenceCounter, ensure_sequence, next_sequence_value
from .ticket import MessageSender, Ticket, TicketCategory, TicketMessage, TicketPriority, TicketStatus

__all__ = [
    "Admin",
    "AdminRole",
    "Client",
    "ClientStatus",
    "PrincipalKind",
    "Ticket",
    "TicketMessage",
    "TicketStatus",
    "TicketPriority",
    "TicketCategory",
    "MessageSender",
    "Order",
    "OrderStatus",
    "OrderCategory",
    "SequenceCounter",
    "ensure_sequence",
    "next_sequence_value",
]
