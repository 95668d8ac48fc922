"""Tool declarations and boundary validation for model-emitted tool calls."""
