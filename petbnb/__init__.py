"""PetBNB: marketplace de cuidadores de mascotas (reservas, chat y peticiones de cuidado)."""
