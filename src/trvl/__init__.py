"""
TRVL - Onboarding and personality profiling service.

Packages:
- trvl: Settings, Supabase client, analytics event log, web app, CLI
- onboarding: Step state machine, quiz scoring, archetypes, reminders
"""

__version__ = "1.0.0"
