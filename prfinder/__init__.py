"""
PR Finder - Show open GitHub pull requests across your contexts.

A CLI tool that:
1. Searches PRs you authored, were asked to review, or are assigned to
2. Collects open PRs in repositories you can push to
3. Deduplicates them into four prioritized sections
4. Prints a report, or opens an fzf picker with a merge action

Usage:
    prfinder                    # Auto-detect interactive mode
    prfinder --owner my-org     # Only repos owned by my-org
    prfinder --no-interactive   # Plain text report
    prfinder -i                 # Force the picker (requires fzf)
"""

__version__ = "0.1.0"
__author__ = "PR Finder"
