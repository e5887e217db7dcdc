"""Helpdesk ticketing API."""
