"""Output layer — Rich/JSON rendering of ServiceResult."""
