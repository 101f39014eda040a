"""Billing Domain - yearly provider subscriptions"""
