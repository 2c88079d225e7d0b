"""CLI modules"""
