"""
Plancraft backend core.

User onboarding and role-based permissions for the Plancraft planning
product, served over FastAPI or as AWS Lambda handlers on DynamoDB.
"""

__version__ = "0.1.0"
