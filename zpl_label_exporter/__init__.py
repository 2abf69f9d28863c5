"""
Render logistic and sales labels to PDF through a ZPL rendering service.
"""
