"""core/ -- Configuration and error kernel shared by the auth package.

Layer rule: core/ imports only stdlib + third-party libraries.
auth/ imports from core/, never the other way around.
"""

__version__ = "1.0.0"
