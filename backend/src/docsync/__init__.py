"""DocuSync - email intake pipeline that files client documents against open requirements."""

__version__ = "0.1.0"
