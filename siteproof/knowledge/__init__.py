"""Static reference tables: Australian Standards, councils, weather rules."""
