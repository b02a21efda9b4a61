"""Project hierarchy - entity dataclasses plus pure validation/planning helpers.

Project → {Folder*, Document*, Persona*, BrandVoice?}; documents form
version chains keyed by (project_id, base_title).
"""
