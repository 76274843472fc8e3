"""
Component modules for the installer.

Each subpackage provides installation and configuration functionality for
one part of the node: the MongoDB server, host tuning and auxiliary tools.
"""
