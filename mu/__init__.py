"""Building blocks for Terraform pull request automation in GitHub Actions."""

__version__ = "0.1.0"