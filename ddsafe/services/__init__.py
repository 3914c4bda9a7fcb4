"""Source resolution, matching, selection and confirmation."""
