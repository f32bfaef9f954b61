"""Text-to-diagram round trips: AI streaming protocols and Excalidraw <-> Mermaid conversion."""

__version__ = "0.1.0"
