"""
Writing assistant: section autosave for the AI blog-writing wizard.
"""
