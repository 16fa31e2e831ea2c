"""SQL Server instance and availability group health check."""


def main():
    """Main entry point for the package."""
    from .cli import main as cli_main
    return cli_main()


# Package metadata
__version__ = "1.0.0"
__all__ = ['main']
