"""Vaidhya healthcare marketplace API"""
