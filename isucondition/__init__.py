"""Isu condition tracking.

Classifies condition readings reported by Isu devices, joins each device with
its latest reading and aggregates a day of readings into dashboard graphs.
"""
