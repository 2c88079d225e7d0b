"""Entry point for python -m invoice_auditor"""

from invoice_auditor.cli.main import app

if __name__ == "__main__":
    app()
