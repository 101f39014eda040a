"""Calls Domain - video/audio sessions for confirmed appointments"""
