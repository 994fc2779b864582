"""
ccontact_sync.sync - Contact models and reconciliation

Contains the contact data model, the reconciliation engine and list
maintenance helpers.
"""
