"""Configuration and database access for the spreadsheet import system."""
