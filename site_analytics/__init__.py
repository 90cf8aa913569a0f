"""
Core package for the site analytics dashboard.

Submodules provide the project hierarchy, record filtering, progress
aggregation, cross-filter correlation and productivity helpers, plus the
Streamlit shell that is orchestrated by the top-level `app.py`.
"""
