"""Collaborator implementations: language model, store, blob storage, processes."""
