"""
Entry Wizard - Guided entry of household financial records

A step-by-step engine for capturing assets, income and expenses.

Core Design Principles:
1. The selected category decides which fields are shown and required
2. A step is only left when it is complete and valid
3. Shared ownership always splits exactly 100% after a slider move
4. Validation reports problems, it never fixes the draft
5. A closed wizard never applies a late result
"""

__version__ = "0.1.0"
__author__ = "Entry Wizard Team"

from entry_wizard.orchestrator import EntryWizard, WizardClosedError, create_wizard

__all__ = ["EntryWizard", "WizardClosedError", "create_wizard", "__version__"]
