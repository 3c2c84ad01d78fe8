from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, SubmitField, SelectField
from wtforms.validators import DataRequired, Email, Length, Optional

ROLE_CHOICES = [('staff', 'Staff'), ('admin', 'Admin')]


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])
    submit = SubmitField('Sign In')


class UserForm(FlaskForm):
    name = StringField('Full name', validators=[DataRequired(), Length(max=128)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Temporary password', validators=[Optional(), Length(min=6)])
    role = SelectField('Role', choices=ROLE_CHOICES, validators=[DataRequired()])
    submit = SubmitField('Save')
