"""Extract timetables and substitution plans from school web pages."""
__version__ = "0.1.0"
