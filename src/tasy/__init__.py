"""
Tasy - Social media content automation.

Packages:
- tasy: settings, Supabase access, web app, CLI, observability
- onboarding: the onboarding wizard core
"""

__version__ = "1.0.0"
