"""
OTA Sync Client Package

Command-line client that rebuilds a server tgz image from a local
reference tree plus the files it is missing.
"""
