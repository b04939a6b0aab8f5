"""clipnote - capture the podcast moment you are listening to as a linked note."""

__version__ = "0.1.0"
