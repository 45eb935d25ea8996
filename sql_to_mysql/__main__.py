"""
Entry point for `python -m sql_to_mysql`.
"""

from .main import cli

if __name__ == '__main__':
    cli()
