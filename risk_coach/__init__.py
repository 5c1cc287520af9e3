"""Trading risk coach: behavioural risk detection for retail trading accounts."""

__version__ = "0.1.0"
