"""Core components for network simulation.

This module contains the fundamental classes and functions for network simulation,
including the event Scheduler, the network fabric (Node, Device, media, UDP
sockets, routing) and the NetworkSimulator runner.
"""
