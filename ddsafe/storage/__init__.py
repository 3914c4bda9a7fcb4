"""Wrappers around lsblk, umount, mc and dd."""
