"""CertTrack: client-side state stores for an engineering certification dashboard."""

__version__ = "0.1.0"
