"""Campus gate pass: leave approval workflow and exit credential service."""

__version__ = "1.0.0"
