from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Length

from brotherhood.model import User


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Length(max=User.EMAIL_MAX_LENGTH)])
    password = PasswordField("Password", validators=[DataRequired()])


class ResetOnboardingForm(FlaskForm):
    pass
