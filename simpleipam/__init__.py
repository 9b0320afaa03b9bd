"""SimpleIPAM - terminal client for a subnet / hostname IPAM service."""

__version__ = "0.1.0"
