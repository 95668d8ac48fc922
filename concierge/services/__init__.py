"""External services: appointment database and CloudWatch metrics."""
