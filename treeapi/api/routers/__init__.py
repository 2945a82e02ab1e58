"""Endpoint groups mounted by :func:`treeapi.api.app.create_app`."""
