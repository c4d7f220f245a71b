"""core pipeline: math extraction, markdown rendering and math reinsertion."""
