from app.ecowaste import create_app

app = create_app()
