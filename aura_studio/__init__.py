"""Aura Studio booking backend"""
