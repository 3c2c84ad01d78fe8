from flask_wtf import FlaskForm
from wtforms import FloatField, SubmitField
from wtforms.validators import DataRequired, NumberRange


class PricingForm(FlaskForm):
    clothes_price_per_kg = FloatField('Clothes (per kg)', validators=[DataRequired(), NumberRange(min=0.01)])
    blankets_light_price_per_kg = FloatField('Light Blankets (per kg)', validators=[DataRequired(), NumberRange(min=0.01)])
    blankets_thick_price_per_kg = FloatField('Thick Blankets (per kg)', validators=[DataRequired(), NumberRange(min=0.01)])
    submit = SubmitField('Save Pricing')
